# A dynamic, exact, constrained delaunay triangulation for navigation
# meshes.  Vertices and constraints come and go one at a time, and a
# dual graph of triangle centroids ("polypoints") is kept in step for
# path planning.  All topological decisions use exact predicates.
import numpy as np
from scipy import spatial

from ..spatial import geometry
from ..spatial.geometry import as_point, as_edge, orientation, in_circle_sos
from ..utils import (array_append, circular_pairs, set_keywords, mag,
                     to_unit, point_segment_distance, dist)
from . import planar_graph
from .planar_graph import GridException, Missing, InvalidEdge, listenable
from .triangle import Triangle, DegenerateTriangle


class DuplicateNode(GridException):
    pass

class OutsideTriangulation(GridException):
    pass

class BadConstraint(GridException):
    def __init__(self,*a,**k):
        super(BadConstraint,self).__init__(*a)
        set_keywords(self,k)

class IntersectingConstraints(BadConstraint):
    edge=None

class NoValidEar(GridException):
    pass


class TriangulationGraph(planar_graph.PlanarGraph):
    """
    Planar graph whose edges are the sides of a set of triangles, plus
    two companion graphs:
      fixed_edges: PlanarGraph of constraint edges, which are never flipped
      polypoints: PlanarGraph over triangle centroids, joined across every
        shared side which is not fixed.
    Cells are stored CCW.  Each edge records the one or two cells on it.
    """
    UNMESHED=-2 # no cell on this side of an edge

    # local exception types
    DuplicateNode=DuplicateNode
    OutsideTriangulation=OutsideTriangulation
    BadConstraint=BadConstraint
    IntersectingConstraints=IntersectingConstraints
    NoValidEar=NoValidEar
    DegenerateTriangle=DegenerateTriangle

    post_check=False # enables [expensive] checks after operations
    clearance=20.0 # offset for get_clearance_point
    init_method='bulk' # 'bulk' or 'incremental', see init_triangulation
    renumber_threshold=0.5 # dynamic_update compacts storage past this deleted fraction

    edge_dtype=(planar_graph.PlanarGraph.edge_dtype +
                [ ('cells',(np.int32,2)) ])
    cell_dtype=[ ('nodes',(np.int32,3)),
                 ('deleted',np.bool_) ]

    def __init__(self,**kwargs):
        self.cells=np.zeros(0,self.cell_dtype)
        self._cell_index={} # sorted node triple => cell
        self._cell_triangles=[] # cell => Triangle
        self._cell_polypoints=[] # cell => Polypoint
        self.fixed_edges=planar_graph.PlanarGraph()
        self.polypoints=planar_graph.PlanarGraph()
        super(TriangulationGraph,self).__init__(**kwargs)

    def edge_defaults(self):
        e=super(TriangulationGraph,self).edge_defaults()
        e['cells']=self.UNMESHED
        return e

    #-# Cell bookkeeping

    def Ncells_valid(self):
        return (~self.cells['deleted']).sum()

    def valid_cell_iter(self):
        for c in np.nonzero(~self.cells['deleted'])[0]:
            yield c

    def nodes_to_cell(self,nodes,fail_hard=True):
        key=tuple(sorted(int(n) for n in nodes))
        c=self._cell_index.get(key,None)
        if c is None and fail_hard:
            raise Missing("No cell with nodes %s"%(key,))
        return c

    def cell_to_edges(self,c):
        return [self.nodes_to_edge(a,b)
                for a,b in circular_pairs(self.cells['nodes'][c])]

    def edge_to_cells(self,j):
        return [c for c in self.edges['cells'][j] if c>=0]

    def edge_other_cell(self,j,c):
        for c_other in self.edges['cells'][j]:
            if c_other>=0 and c_other!=c:
                return c_other
        return None

    def cell_apex(self,c,a,b):
        """ the node of cell c which is not a or b """
        for n in self.cells['nodes'][c]:
            if n!=a and n!=b:
                return n
        raise GridException("Cell %d has no apex opposite %d,%d"%(c,a,b))

    def cell_triangle(self,c):
        return self._cell_triangles[c]

    def cell_polypoint(self,c):
        return self._cell_polypoints[c]

    @listenable
    def add_cell(self,nodes,allow_degenerate=False):
        """
        Add a triangle over three existing nodes, creating any sides
        which do not yet exist.  Nodes are reordered CCW.
        allow_degenerate: accept a zero-area cell.  Only vertex removal
          needs this, and such cells never survive a completed operation.
        """
        nodes=[int(n) for n in nodes]
        if len(set(nodes))!=3:
            raise GridException("Cell needs 3 distinct nodes, got %s"%nodes)
        key=tuple(sorted(nodes))
        if key in self._cell_index:
            raise GridException("Cell %s already exists"%(key,))
        pts=[self.node_point(n) for n in nodes]
        tri=Triangle(*pts,check_empty=not allow_degenerate)
        if orientation(*pts)<0:
            nodes=[nodes[0],nodes[2],nodes[1]]

        # check all sides before modifying anything
        sides=[]
        for a,b in circular_pairs(nodes):
            j=self.nodes_to_edge(a,b)
            if j is not None and np.all(self.edges['cells'][j]>=0):
                raise InvalidEdge("Edge %d-%d already has two cells"%(a,b))
            sides.append(j)
        for i,(a,b) in enumerate(circular_pairs(nodes)):
            if sides[i] is None:
                sides[i]=self.add_edge(nodes=[a,b])

        self.cells=array_append(self.cells)
        c=len(self.cells)-1
        self.cells['nodes'][c]=nodes
        self.cells['deleted'][c]=False
        for j in sides:
            slot=0 if self.edges['cells'][j,0]<0 else 1
            self.edges['cells'][j,slot]=c
        self._cell_index[key]=c
        self._cell_triangles.append(tri)

        pp=tri.get_center()
        self._cell_polypoints.append(pp)
        self.polypoints.add_node(pp)
        for j in sides:
            c_nbr=self.edge_other_cell(j,c)
            if c_nbr is not None and not self.edge_is_fixed(j):
                self.polypoints.connect(pp,self._cell_polypoints[c_nbr])
        return c

    @listenable
    def delete_cell(self,c):
        self.polypoints.remove_vertex_safe(self._cell_polypoints[c])
        for j in self.cell_to_edges(c):
            for slot in [0,1]:
                if self.edges['cells'][j,slot]==c:
                    self.edges['cells'][j,slot]=self.UNMESHED
        del self._cell_index[tuple(sorted(int(n) for n in self.cells['nodes'][c]))]
        self.cells['deleted'][c]=True

    def delete_edge(self,j):
        if np.any(self.edges['cells'][j]>=0):
            raise GridException("Edge %d has cell neighbors"%j)
        super(TriangulationGraph,self).delete_edge(j)

    def delete_node_cascade(self,n):
        for j in list(self.node_to_edges(n)):
            for c in self.edge_to_cells(j):
                self.delete_cell(c)
            self.delete_edge(j)
        self.delete_node(n)

    def renumber(self):
        """
        Compact nodes, edges and cells, and the fixed edge and polypoint
        graphs, dropping deleted rows.
        """
        maps=super(TriangulationGraph,self).renumber()
        maps['cell_map']=cell_map=self.renumber_cells(maps['node_map'])

        cells=self.edges['cells']
        meshed=cells>=0
        cells[meshed]=cell_map[cells[meshed]]

        self.fixed_edges.renumber()
        self.polypoints.renumber()
        self.log.debug("Renumbered to %d nodes, %d edges, %d cells"%(
            len(self.nodes),len(self.edges),len(self.cells)))
        return maps

    def renumber_cells(self,node_map):
        valid=~self.cells['deleted']
        cell_map=np.zeros(len(self.cells),np.int32)-1
        cell_map[valid]=np.arange(valid.sum())

        self.cells=self.cells[valid]
        self.cells['nodes']=node_map[self.cells['nodes']]
        self._cell_triangles=[t for t,v in zip(self._cell_triangles,valid) if v]
        self._cell_polypoints=[pp for pp,v in zip(self._cell_polypoints,valid) if v]
        self._cell_index=dict( (tuple(sorted(int(n) for n in nodes)),c)
                               for c,nodes in enumerate(self.cells['nodes']) )
        return cell_map

    def deleted_fraction(self):
        """ largest fraction of deleted rows in any array here or in the
        fixed edge and polypoint graphs
        """
        fracs=[0.0]
        for A in [self.nodes,self.edges,self.cells,
                  self.fixed_edges.nodes,self.fixed_edges.edges,
                  self.polypoints.nodes,self.polypoints.edges]:
            if len(A):
                fracs.append(A['deleted'].sum()/float(len(A)))
        return max(fracs)

    def maybe_renumber(self):
        if self.deleted_fraction()>self.renumber_threshold:
            self.renumber()

    #-# Triangle level interface

    def add_triangle(self,t):
        nodes=[self.add_or_find_node(p) for p in t.get_points()]
        return self.add_cell(nodes)

    def remove_triangle(self,t):
        """ remove the face t, along with any of its sides which are
        left without a face.
        """
        nodes=[self.point_to_node(p) for p in t.get_points()]
        c=self.nodes_to_cell(nodes)
        sides=self.cell_to_edges(c)
        self.delete_cell(c)
        for j in sides:
            if len(self.edge_to_cells(j))==0:
                self.delete_edge(j)

    def find_triangle(self,p1,p2,p3):
        nodes=[self.point_to_node(p,fail_hard=False) for p in [p1,p2,p3]]
        if None in nodes:
            return None
        c=self.nodes_to_cell(nodes,fail_hard=False)
        if c is None:
            return None
        return self._cell_triangles[c]

    @property
    def triangles(self):
        return [self._cell_triangles[c] for c in self.valid_cell_iter()]

    def num_triangles(self):
        return int(self.Ncells_valid())

    def get_polypoint(self,t):
        """ dual vertex for triangle t """
        nodes=[self.point_to_node(p) for p in t.get_points()]
        return self._cell_polypoints[self.nodes_to_cell(nodes)]

    def _cell_bounds(self):
        valid=np.nonzero(~self.cells['deleted'])[0]
        tri_xy=self.nodes['x'][self.cells['nodes'][valid]]
        return valid,tri_xy.min(axis=1),tri_xy.max(axis=1)

    def containing_cells(self,x):
        """ cells which contain x, boundary inclusive.  A bounding box
        prefilter in numpy, then exact tests.
        """
        p=as_point(x)
        valid,lo,hi=self._cell_bounds()
        xy=np.array([p[0],p[1]],np.float64)
        sel=np.all( (lo<=xy) & (xy<=hi), axis=1)
        return [int(c) for c in valid[sel]
                if self._cell_triangles[c].contains_point(p)]

    def find_containing_triangles(self,x):
        return [self._cell_triangles[c] for c in self.containing_cells(x)]

    def polypoint_at(self,x):
        """ dual vertex of the triangle containing x, the planner's
        entry into the dual graph.
        """
        cells=self.containing_cells(x)
        if not cells:
            raise OutsideTriangulation("%s is not inside the triangulation"%(as_point(x),))
        return self._cell_polypoints[cells[0]]

    #-# Fixed edges

    def is_fixed(self,e):
        a,b=as_edge(e)
        return self.fixed_edges.is_connected(a,b)

    def edge_is_fixed(self,j):
        return self.is_fixed(self.edge_points(j))

    def nodes_are_fixed(self,a,b):
        return self.fixed_edges.is_connected(self.node_point(a),self.node_point(b))

    def get_fixed_edges(self):
        return self.fixed_edges.get_edges()

    def num_fixed_edges(self):
        return self.fixed_edges.num_edges()

    def add_fixed_edge(self,e):
        """
        Mark e as fixed.  This does not change the geometry - e does not
        have to be a side in the mesh yet.  Fixing twice is a no-op.
        """
        a,b=as_edge(e)
        if self.fixed_edges.is_connected(a,b):
            return
        self.fixed_edges.add_edge_and_vertices(a,b)
        na=self.point_to_node(a,fail_hard=False)
        nb=self.point_to_node(b,fail_hard=False)
        if na is None or nb is None:
            return
        j=self.nodes_to_edge(na,nb)
        if j is None:
            return
        cells=self.edge_to_cells(j)
        if len(cells)==2:
            self.polypoints.remove_edge(self._cell_polypoints[cells[0]],
                                        self._cell_polypoints[cells[1]])

    def unfix_edge(self,e):
        """
        Release a fixed edge, reconnect the dual graph across it, and
        flip as needed to make the neighborhood delaunay again.
        """
        a,b=as_edge(e)
        if not self.fixed_edges.is_connected(a,b):
            raise Missing("Edge %s-%s is not fixed"%(a,b))
        self.fixed_edges.remove_edge(a,b)
        for p in [a,b]:
            if len(self.fixed_edges.neighbors(p))==0:
                self.fixed_edges.remove_vertex(p)

        na=self.point_to_node(a,fail_hard=False)
        nb=self.point_to_node(b,fail_hard=False)
        if na is None or nb is None:
            return
        j=self.nodes_to_edge(na,nb)
        if j is None:
            return
        cells=self.edge_to_cells(j)
        if len(cells)==2:
            self.polypoints.connect(self._cell_polypoints[cells[0]],
                                    self._cell_polypoints[cells[1]])
            self.restore_delaunay([j])
        self._post_check()

    #-# Flipping

    def is_legal(self,a,b,c,d):
        """ side a-b with apexes c and d is locally delaunay """
        xy=self.nodes['x']
        return in_circle_sos(xy[a],xy[b],xy[c],xy[d])<=0

    def flip_edge(self,j):
        """
        Replace edge j by the other diagonal of the quad formed by its
        two cells.  Returns the two new cells.
        """
        c_left,c_right=self.edge_to_cells(j)
        na,nb=self.edges['nodes'][j]
        nc=self.cell_apex(c_left,na,nb)
        nd=self.cell_apex(c_right,na,nb)
        self.log.debug("Flipping edge %d (%d,%d) to (%d,%d)"%(j,na,nb,nc,nd))

        self.delete_cell(c_left)
        self.delete_cell(c_right)
        self.delete_edge(j)
        new_left =self.add_cell(nodes=[nc,nd,na])
        new_right=self.add_cell(nodes=[nc,nd,nb])
        return new_left,new_right

    def restore_delaunay(self,edges):
        """ Lawson flips starting from the given edges, until every
        non-fixed side they lead to is locally delaunay.
        """
        stack=list(edges)
        while stack:
            j=stack.pop()
            if self.edges['deleted'][j] or self.edge_is_fixed(j):
                continue
            cells=self.edge_to_cells(j)
            if len(cells)<2:
                continue
            a,b=self.edges['nodes'][j]
            c=self.cell_apex(cells[0],a,b)
            d=self.cell_apex(cells[1],a,b)
            if self.is_legal(a,b,c,d):
                continue
            diagonal_nodes=(c,d)
            for c_new in self.flip_edge(j):
                for j_new in self.cell_to_edges(c_new):
                    if set(self.edges['nodes'][j_new])!=set(diagonal_nodes):
                        stack.append(j_new)

    def find_opposite_point(self,p,e):
        """
        The apex across e from the triangle which has p and e as
        corners, or None if e is on the mesh boundary.
        """
        n=self.point_to_node(p)
        a,b=[self.point_to_node(q) for q in as_edge(e)]
        o=self.opposite_node(n,a,b)
        if o is None:
            return None
        return self.node_point(o)

    def opposite_node(self,n,a,b):
        j=self.nodes_to_edge(a,b)
        if j is None:
            raise Missing("No edge between %d and %d"%(a,b))
        near=[]
        far=[]
        for c in self.edge_to_cells(j):
            if n in self.cells['nodes'][c]:
                near.append(c)
            else:
                far.append(c)
        if len(near)!=1:
            raise GridException("Node %d is not opposite edge %d-%d in exactly one cell"%(n,a,b))
        if len(far)==0:
            return None
        return self.cell_apex(far[0],a,b)

    def legalize_edge(self,p,e):
        """
        p was just inserted and e is a side opposite it.  Flip e if the
        apex beyond it is inside the circumcircle, then continue with
        the two sides exposed by the flip.
        """
        n=self.point_to_node(p)
        stack=[tuple(self.point_to_node(q) for q in as_edge(e))]
        while stack:
            a,b=stack.pop()
            if self.nodes_are_fixed(a,b):
                continue
            o=self.opposite_node(n,a,b)
            if o is None or self.is_legal(a,b,n,o):
                continue
            self.flip_edge(self.nodes_to_edge(a,b))
            stack.append( (b,o) )
            stack.append( (a,o) )

    #-# Incremental insertion

    def delaunay_add_vertex(self,p):
        """
        Insert p into the existing triangulation, splitting the one
        triangle containing it, or the two triangles on either side of
        the edge it falls on.  Returns the new node.
        """
        p=as_point(p)
        if self.has_vertex(p):
            raise DuplicateNode("%s is already a vertex"%(p,))
        cells=self.containing_cells(p)

        if len(cells)==1:
            c=cells[0]
            corners=list(self.cells['nodes'][c])
            on_side=None
            for a,b in circular_pairs(corners):
                if orientation(self.node_point(a),self.node_point(b),p)==0:
                    on_side=(a,b)
            if on_side is None:
                n=self.add_node(p)
                self.delete_cell(c)
                for a,b in circular_pairs(corners):
                    self.add_cell([n,a,b])
                for a,b in circular_pairs(corners):
                    self.legalize_edge(p,(self.node_point(a),self.node_point(b)))
            else:
                # p is on a boundary side
                a,b=on_side
                apex=self.cell_apex(c,a,b)
                n=self.split_side(p,[c],a,b)
                for m in [a,b]:
                    self.add_cell([n,m,apex])
                for m in [a,b]:
                    self.legalize_edge(p,(self.node_point(m),self.node_point(apex)))
        elif len(cells)==2:
            t1,t2=[self._cell_triangles[c] for c in cells]
            shared,unique=t1.categorize_points(t2)
            if len(shared)!=2:
                raise GridException("Triangles containing %s do not share a side"%(p,))
            a,b=[self.point_to_node(q) for q in shared]
            apexes=[self.point_to_node(q) for q in unique]
            n=self.split_side(p,cells,a,b)
            for m in [a,b]:
                for apex in apexes:
                    self.add_cell([n,m,apex])
            for m in [a,b]:
                for apex in apexes:
                    self.legalize_edge(p,(self.node_point(m),self.node_point(apex)))
        else:
            raise OutsideTriangulation("%s is in %d triangles"%(p,len(cells)))

        self._post_check()
        return n

    def split_side(self,p,cells,a,b):
        """ clear the cells on side a-b and the side itself, then add
        the node for p, which splits it.  A fixed side stays fixed as
        two halves.
        """
        fixed=self.nodes_are_fixed(a,b)
        for c in cells:
            self.delete_cell(c)
        self.delete_edge(self.nodes_to_edge(a,b))
        n=self.add_node(p)
        if fixed:
            pa,pb=self.node_point(a),self.node_point(b)
            self.fixed_edges.remove_edge(pa,pb)
            self.add_fixed_edge( (pa,p) )
            self.add_fixed_edge( (p,pb) )
        return n

    #-# Region retriangulation

    def triangulate_region(self,points):
        """
        Fill the polygon given by points with delaunay triangles.  The
        first and last point must already be joined by an edge.
        Returns the list of new cells.
        """
        nodes=[self.point_to_node(p) for p in points]
        if len(nodes)>=3 and self.nodes_to_edge(nodes[0],nodes[-1]) is None:
            raise Missing("Region ends %s and %s are not connected"%(points[0],points[-1]))
        return self.triangulate_region_nodes(nodes)

    def triangulate_region_nodes(self,nodes):
        new_cells=[]
        regions=[list(nodes)]
        xy=self.nodes['x']
        while regions:
            region=regions.pop()
            if len(region)<3:
                continue
            if len(region)==3:
                if ( orientation(*xy[region])!=0 and
                     self.nodes_to_cell(region,fail_hard=False) is None ):
                    new_cells.append(self.add_cell(region))
                continue

            first,last=region[0],region[-1]
            interior=region[1:-1]
            for i,c in enumerate(interior):
                if orientation(xy[first],xy[c],xy[last])==0:
                    continue
                for d in interior:
                    if d!=c and in_circle_sos(xy[first],xy[c],xy[last],xy[d])>0:
                        break
                else:
                    break
            else:
                raise GridException("No delaunay triangle on base %d-%d"%(first,last))

            new_cells.append(self.add_cell([first,c,last]))
            regions.append(region[i+1:])
            regions.append(region[:i+2])
        return new_cells

    #-# Constraints

    def nodes_on_segment(self,nA,nB):
        """ nodes on the open segment nA-nB, ordered from nA """
        pa,pb=self.node_point(nA),self.node_point(nB)
        xy=self.nodes['x']
        lo=np.minimum(xy[nA],xy[nB])
        hi=np.maximum(xy[nA],xy[nB])
        sel=(~self.nodes['deleted']) & np.all( (xy>=lo) & (xy<=hi), axis=1)
        hits=[n for n in np.nonzero(sel)[0]
              if geometry.on_segment_interior(self.node_point(n),(pa,pb))]
        hits.sort(key=lambda n: dist(xy[n],xy[nA]))
        return hits

    def cells_crossed_by(self,pa,pb):
        valid,lo,hi=self._cell_bounds()
        seg=np.array([[pa[0],pa[1]],[pb[0],pb[1]]],np.float64)
        sel=np.all( (lo<=seg.max(axis=0)) & (hi>=seg.min(axis=0)), axis=1)
        return [int(c) for c in valid[sel]
                if self._cell_triangles[c].is_intersecting_edge((pa,pb),strict=True)]

    def find_upper_and_lower(self,cells,nA,nB):
        """
        Walk the cells crossed by nA-nB from nA to nB, collecting the
        chain of nodes left (upper) and right (lower) of the segment.
        Both chains start at nA and end at nB.
        """
        pa,pb=self.node_point(nA),self.node_point(nB)
        remaining=list(cells)
        upper=[nA]
        lower=[nA]
        while remaining:
            lu,ll=upper[-1],lower[-1]
            for c in remaining:
                corners=list(self.cells['nodes'][c])
                if lu in corners and ll in corners:
                    break
            else:
                raise BadConstraint("Constraint region is not a chain of triangles at %d,%d"%(lu,ll))
            remaining.remove(c)

            new=[n for n in corners if n!=lu and n!=ll]
            if lu==ll:
                if len(new)!=2:
                    raise BadConstraint("Bad starting triangle %d for constraint"%c)
            elif len(new)!=1:
                raise BadConstraint("Constraint walk lost its way at cell %d"%c)
            for n in new:
                if n==nB:
                    upper.append(n)
                    lower.append(n)
                    continue
                side=orientation(pa,pb,self.node_point(n))
                if side>0:
                    upper.append(n)
                elif side<0:
                    lower.append(n)
                else:
                    raise BadConstraint("Node %d is on the constraint"%n)
            self.log.debug("constraint walk: cell %d upper=%s lower=%s"%(c,upper,lower))

        if upper[-1]!=nB or lower[-1]!=nB:
            raise BadConstraint("Constraint walk did not reach %d"%nB)
        return upper,lower

    def delaunay_add_constraint_edge(self,e):
        """
        Force e into the mesh as a fixed edge.  Triangles crossed by e
        are removed and the cavity on either side of e is refilled.
        Vertices lying on e split it into several fixed edges.
        """
        pa,pb=as_edge(e)
        nA=self.point_to_node(pa)
        nB=self.point_to_node(pb)
        if nA==nB:
            raise InvalidEdge("Constraint from %s to itself"%(pa,))

        if self.nodes_to_edge(nA,nB) is not None:
            self.add_fixed_edge( (pa,pb) )
            return

        on_seg=self.nodes_on_segment(nA,nB)
        if on_seg:
            chain=[nA]+on_seg+[nB]
            for a,b in zip(chain[:-1],chain[1:]):
                self.delaunay_add_constraint_edge( (self.node_point(a),self.node_point(b)) )
            return

        cells=self.cells_crossed_by(pa,pb)
        if not cells:
            raise BadConstraint("Constraint %s-%s is outside the triangulation"%(pa,pb))

        dead_edges=set()
        for c in cells:
            for j in self.cell_to_edges(c):
                if geometry.segments_cross( (pa,pb), self.edge_points(j) ):
                    if self.edge_is_fixed(j):
                        raise IntersectingConstraints("Constraint %s-%s crosses fixed edge %d"%(pa,pb,j),
                                                      edge=j)
                    dead_edges.add(j)

        upper,lower=self.find_upper_and_lower(cells,nA,nB)

        for c in cells:
            self.delete_cell(c)
        for j in dead_edges:
            self.delete_edge(j)
        self.add_edge(nodes=[nA,nB])
        self.add_fixed_edge( (pa,pb) )
        self.triangulate_region_nodes(upper)
        self.triangulate_region_nodes(lower)
        self._post_check()

    #-# Vertex removal

    def vertex_ring(self,n):
        """
        Neighbors of n sorted CCW.  Returns (ring,closed).  If n is on
        the mesh boundary, the ring is an open chain, starting and
        ending at the two boundary neighbors.
        """
        nbrs=self.node_to_nodes(n)
        order=geometry.radial_sort([self.node_point(m) for m in nbrs],
                                   center=self.node_point(n))
        ring=[self.point_to_node(q) for q in order]
        k=len(ring)
        if k<=2:
            return ring,False
        gaps=[i for i in range(k)
              if self.nodes_to_cell([n,ring[i],ring[(i+1)%k]],fail_hard=False) is None]
        if len(gaps)==0:
            return ring,True
        if len(gaps)>1:
            raise GridException("Neighbors of node %d do not form a ring"%n)
        i=gaps[0]
        return ring[i+1:]+ring[:i+1],False

    def find_ear(self,n,ring,closed):
        xy=self.nodes['x']
        k=len(ring)
        if closed:
            candidates=range(k)
        else:
            candidates=range(1,k-1)
        for i in candidates:
            v1,v2,v3=ring[i-1],ring[i],ring[(i+1)%k]
            if orientation(xy[v1],xy[v2],xy[v3])<=0:
                continue
            if orientation(xy[n],xy[v1],xy[v3])<0:
                continue
            for m in ring:
                if m in (v1,v2,v3):
                    continue
                if in_circle_sos(xy[v1],xy[v2],xy[v3],xy[m])>0:
                    break
            else:
                return v1,v2,v3
        return None

    def clip_ear(self,n,v1,v2,v3):
        self.log.debug("Clipping ear %d,%d,%d around %d"%(v1,v2,v3,n))
        self.delete_cell(self.nodes_to_cell([n,v1,v2]))
        self.delete_cell(self.nodes_to_cell([n,v2,v3]))
        self.delete_edge(self.nodes_to_edge(n,v2))
        self.add_cell([v1,v2,v3])
        self.add_cell([v1,v3,n],allow_degenerate=True)

    def delaunay_remove_vertex(self,p):
        """
        Remove vertex p and retriangulate its star by clipping delaunay
        ears.  p must not have fixed edges.  A vertex on a straight
        stretch of the mesh boundary can be removed, a corner of the
        boundary cannot.
        """
        p=as_point(p)
        n=self.point_to_node(p)
        if self.fixed_edges.has_vertex(p) and self.fixed_edges.neighbors(p):
            raise BadConstraint("%s has fixed edges, which must be unfixed first"%(p,))

        ring,closed=self.vertex_ring(n)
        if closed and len(ring)<3:
            raise GridException("Node %d has a degenerate ring"%n)
        if not closed:
            if len(ring)<2:
                raise GridException("Node %d is not part of the triangulation"%n)
            ends=(self.node_point(ring[0]),self.node_point(ring[-1]))
            if not geometry.on_segment_interior(p,ends):
                raise GridException("Removing %s would change the triangulated region"%(p,))

        while 1:
            if closed and len(ring)==3:
                cells=[self.nodes_to_cell([n,a,b]) for a,b in circular_pairs(ring)]
                for c in cells:
                    self.delete_cell(c)
                for m in ring:
                    self.delete_edge(self.nodes_to_edge(n,m))
                self.delete_node(n)
                self.add_cell(ring)
                break
            if not closed and len(ring)==2:
                self.delete_cell(self.nodes_to_cell([n,ring[0],ring[1]]))
                for m in ring:
                    self.delete_edge(self.nodes_to_edge(n,m))
                self.delete_node(n)
                break
            ear=self.find_ear(n,ring,closed)
            if ear is None:
                raise NoValidEar("No valid ear while removing %s"%(p,))
            self.clip_ear(n,*ear)
            ring,closed=self.vertex_ring(n)

        self._post_check()

    #-# Batched updates and construction

    def dynamic_update(self,unfix_edges=(),constraining_edges=(),
                       remove_vertices=(),add_vertices=()):
        """
        Apply a set of changes in the order: unfix edges, remove
        vertices, add vertices, add constraints.  Not transactional - if
        one step fails the mesh should be rebuilt.
        """
        unfix_edges=list(unfix_edges)
        constraining_edges=list(constraining_edges)
        remove_vertices=list(remove_vertices)
        add_vertices=list(add_vertices)

        for e in unfix_edges:
            self.unfix_edge(e)
        for p in remove_vertices:
            self.delaunay_remove_vertex(p)
        for p in add_vertices:
            self.delaunay_add_vertex(p)
        for e in constraining_edges:
            self.delaunay_add_constraint_edge(e)
        self.log.info("dynamic update: unfixed %d, removed %d, added %d, constrained %d"%(
            len(unfix_edges),len(remove_vertices),len(add_vertices),len(constraining_edges)))
        self.maybe_renumber()

    def init_triangulation(self,boundary,constraints=(),vertices=()):
        """
        Build the mesh over the convex polygon boundary, with extra
        interior vertices and constraint edges.  Constraint endpoints
        are added as vertices.
        """
        if self.Nnodes_valid()>0:
            raise GridException("Triangulation is already initialized")
        if self.init_method not in ('bulk','incremental'):
            raise GridException("Unknown init_method %s"%self.init_method)

        boundary=[as_point(p) for p in boundary]
        seen=set(boundary)
        if len(seen)!=len(boundary):
            raise DuplicateNode("Boundary has repeated points")
        if not self.is_convex_polygon(boundary):
            raise GridException("Boundary must be a convex polygon")
        extra=[]
        for p in list(vertices) + [q for e in constraints for q in e]:
            p=as_point(p)
            if p not in seen:
                seen.add(p)
                extra.append(p)

        if self.init_method=='bulk' and self.bulk_init(boundary+extra):
            pass
        else:
            self.incremental_init(boundary,extra)

        for e in constraints:
            self.delaunay_add_constraint_edge(e)
        self.log.info("Initialized with %d vertices, %d triangles, %d fixed edges"%(
            self.num_vertices(),self.num_triangles(),self.num_fixed_edges()))
        self.maybe_renumber()
        self._post_check()

    def is_convex_polygon(self,points):
        """
        True if every point is on the same side of (or on) every side of
        the polygon, in either winding.  Collinear points along a side are
        allowed, a polygon with no area is not.
        """
        if len(points)<3:
            return False
        signs=set()
        for a,b in circular_pairs(points):
            for p in points:
                signs.add(orientation(a,b,p))
        signs.discard(0)
        return len(signs)==1

    def incremental_init(self,boundary,extra):
        nodes=[self.add_node(p) for p in boundary]
        for a,b in circular_pairs(nodes):
            self.add_edge(nodes=[a,b])
        self.triangulate_region_nodes(nodes)
        for p in extra:
            self.delaunay_add_vertex(p)

    def bulk_init(self,points):
        """
        Seed an empty mesh from Qhull's delaunay triangulation of
        points, then legalize it with exact predicates.  Returns False,
        leaving the mesh untouched, if Qhull drops a point or returns a
        flat triangle.
        """
        points=[as_point(p) for p in points]
        xy=np.array(points,np.float64)

        # centering helps Qhull with large coordinates
        sdt=spatial.Delaunay(xy-xy.mean(axis=0))
        simplices=sdt.simplices

        if len(np.unique(simplices))!=len(points):
            self.log.warning("Qhull dropped %d points, falling back to incremental"%(
                len(points)-len(np.unique(simplices))))
            return False
        for tri in simplices:
            if orientation(*[points[i] for i in tri])==0:
                self.log.warning("Qhull returned a flat triangle, falling back to incremental")
                return False

        nodes=[self.add_node(p) for p in points]
        for tri in simplices:
            self.add_cell([nodes[i] for i in tri])
        self.restore_delaunay(list(self.valid_edge_iter()))
        return True

    #-# Queries for the planner

    def get_clearance_point(self,corner):
        """
        Location offset by self.clearance from a corner where exactly two
        fixed edges meet, pointing away from both walls.  None if the two
        walls are in line.
        """
        corner=as_point(corner)
        if not self.fixed_edges.has_vertex(corner):
            raise Missing("%s has no fixed edges"%(corner,))
        nbrs=self.fixed_edges.neighbors(corner)
        if len(nbrs)!=2:
            raise GridException("%s has %d fixed edges, expected 2"%(corner,len(nbrs)))
        c_xy=np.array(corner,np.float64)
        units=to_unit(np.array(nbrs,np.float64)-c_xy)
        bisector=units.sum(axis=0)
        L=mag(bisector)
        if L==0.0:
            return None
        return as_point(c_xy - self.clearance*bisector/L)

    def point_clearance(self,x):
        """
        Distance from x to the nearest corner or fixed side of the
        triangle containing x.
        """
        cells=self.containing_cells(x)
        if not cells:
            raise OutsideTriangulation("%s is not inside the triangulation"%(as_point(x),))
        c=cells[0]
        corners=self.cells['nodes'][c]
        min_clearance=dist(self.nodes['x'][corners],np.asarray(x,np.float64)).min()
        for j in self.cell_to_edges(c):
            if self.edge_is_fixed(j):
                j_clearance=point_segment_distance(x,self.nodes['x'][self.edges['nodes'][j]])
                min_clearance=min(min_clearance,j_clearance)
        return float(min_clearance)

    #-# Invariant checks

    def check_orientations(self):
        """
        Checks all cells for proper CCW orientation,
        return a list of cell indexes of failures.
        """
        bad_cells=[]
        for c in self.valid_cell_iter():
            node_xy=self.nodes['x'][self.cells['nodes'][c]]
            if orientation(*node_xy) <= 0:
                bad_cells.append(c)
        return bad_cells

    def check_local_delaunay(self):
        """ Check both sides of each non-fixed edge.
        returns [ (cell,node), ...] where node is inside the circumcircle
        of cell.
        """
        bad_checks=[]
        for j in self.valid_edge_iter():
            if self.edge_is_fixed(j):
                continue
            cells=self.edge_to_cells(j)
            if len(cells)<2:
                continue
            a,b=self.edges['nodes'][j]
            c=min(cells)
            n=self.cell_apex(max(cells),a,b)
            pnts=self.nodes['x'][self.cells['nodes'][c]]
            if in_circle_sos(pnts[0],pnts[1],pnts[2],self.nodes['x'][n])>0:
                self.log.error("Node %d is inside the circumcircle of cell %d"%(n,c))
                bad_checks.append( (c,n) )
        return bad_checks

    def check_planarity(self):
        """ [ (node,cell), ...] for nodes inside a cell which does not
        have them as a corner.
        """
        bad=[]
        for n in self.valid_node_iter():
            for c in self.containing_cells(self.node_point(n)):
                if n not in self.cells['nodes'][c]:
                    self.log.error("Node %d falls inside cell %d"%(n,c))
                    bad.append( (n,c) )
        return bad

    def check_edge_faces(self):
        """ edges which do not have 1 or 2 cells, and cells whose sides
        are missing.
        """
        bad=[]
        for j in self.valid_edge_iter():
            cells=self.edge_to_cells(j)
            if len(cells)==0:
                self.log.error("Edge %d has no cells"%j)
                bad.append( ('edge',j) )
            for c in cells:
                if self.cells['deleted'][c]:
                    self.log.error("Edge %d refers to deleted cell %d"%(j,c))
                    bad.append( ('edge',j) )
        for c in self.valid_cell_iter():
            for j in self.cell_to_edges(c):
                if j is None or c not in self.edges['cells'][j]:
                    self.log.error("Cell %d has a missing side"%c)
                    bad.append( ('cell',c) )
        return bad

    def check_dual_graph(self):
        """ differences between the polypoint graph and the adjacency
        of cells across non-fixed sides.
        """
        bad=[]
        if self.polypoints.num_vertices()!=self.num_triangles():
            self.log.error("%d polypoints for %d triangles"%(self.polypoints.num_vertices(),
                                                              self.num_triangles()))
            bad.append( ('count',None) )
        expected=0
        for j in self.valid_edge_iter():
            cells=self.edge_to_cells(j)
            if len(cells)!=2:
                continue
            pp0,pp1=[self._cell_polypoints[c] for c in cells]
            connected=self.polypoints.is_connected(pp0,pp1)
            if self.edge_is_fixed(j):
                if connected:
                    self.log.error("Dual edge crosses fixed edge %d"%j)
                    bad.append( ('fixed',j) )
            else:
                expected+=1
                if not connected:
                    self.log.error("No dual edge across edge %d"%j)
                    bad.append( ('missing',j) )
        if expected!=self.polypoints.num_edges():
            self.log.error("%d dual edges, expected %d"%(self.polypoints.num_edges(),expected))
            bad.append( ('extra',None) )
        return bad

    def check_invariants(self):
        failed=[]
        for name,check in [('orientations',self.check_orientations),
                           ('local delaunay',self.check_local_delaunay),
                           ('planarity',self.check_planarity),
                           ('edge faces',self.check_edge_faces),
                           ('dual graph',self.check_dual_graph)]:
            if check():
                failed.append(name)
        if failed:
            raise GridException("Invariants violated: %s"%(", ".join(failed)))

    def _post_check(self):
        if self.post_check:
            self.check_invariants()
